#!/usr/bin/env python3
"""
RESTAGE Prompts - Instruction text for each pipeline stage.

Every builder is a pure function of its arguments.
"""

from typing import Optional


def reference_quality_prompt(image_count: int) -> str:
    """Prompt for the pre-flight suitability check of the reference photos."""
    noun = "image" if image_count == 1 else "images"
    return f"""You are a product photography quality inspector for an AI image editor. Attached are {image_count} reference {noun} of a product that will later be inserted into a marketing image.

Decide whether these reference {noun} are suitable for that task. Evaluate:
- Focus: Is the product sharp and in focus?
- Lighting: Is the product evenly lit, without blown highlights or deep shadows hiding detail?
- Background: Is the background clean and uncluttered so the product is easy to isolate?
- Confounding subjects: Are there other objects, people, hands, or products that could be mistaken for the product?

Respond with ONLY a JSON object of exactly this structure:
{{
  "areImagesSuitable": <true or false>,
  "reasoning": "one or two sentences explaining the verdict"
}}

Set "areImagesSuitable" to false if any issue is likely to degrade the final result."""


def consistency_analysis_prompt(image_count: int) -> str:
    """Prompt that derives the critical instruction for a fresh attempt."""
    return f"""You are a logical reasoning assistant for an advanced AI image editor. Your task is to analyze a set of reference product images and a target marketing image to create a single, precise instruction for the editor.

The first {image_count} attached image(s) show the new product. The final attached image is the target marketing image.

1. **Analyze the Target Image:** Carefully examine the target marketing image. Identify the primary product that needs to be replaced. Pay close attention to the quantity of the product (e.g., is it a single shoe, a pair of shoes, one bottle, a six-pack of bottles?).
2. **Analyze the Reference Images:** Examine the new product in the reference images.
3. **Create a Critical Instruction:** Based on your analysis, write a single, clear, and concise imperative sentence for the image editor. The sentence MUST state exactly how many instances of the product must appear in the result. For example, if the target image contains a single shoe and the reference images show a pair of shoes, your instruction MUST explicitly say to replace the single shoe with ONLY ONE shoe from the reference.

**Example Output:** "Replace the single sneaker in the target image with a single sneaker from the reference images, ensuring only one shoe is depicted in the final result."

Your output must be ONLY this single instruction sentence. Do not add any extra text, explanations, or greetings."""


def feedback_analysis_prompt(feedback: str, image_count: int) -> str:
    """Prompt that revises the critical instruction after the user rejected a result."""
    return f"""You are a logical reasoning assistant for an advanced AI image editor. A previous attempt to replace the product in a marketing image was rejected by the user.

The first {image_count} attached image(s) show the new product. The final attached image is the target marketing image.

USER FEEDBACK ON THE PREVIOUS ATTEMPT:
"{feedback}"

Your task:
1. Work out what went wrong from the feedback.
2. Re-examine the target image, including the quantity of the product shown, and the reference images.
3. Write a single, clear, imperative instruction sentence for the image editor that corrects the issues raised in the feedback while still replacing the product in the target image with the product from the reference images. The sentence MUST state exactly how many instances of the product must appear in the result.

Your output must be ONLY this single instruction sentence. Do not add any extra text, explanations, or greetings."""


def generation_prompt(
    image_count: int,
    critical_instruction: str,
    feedback: Optional[str] = None
) -> str:
    """Editing directive sent to the image model."""
    prompt = f"""You are an expert photorealistic image editor AI. Your function is to replace products in images.

Attached are {image_count} images of the new product for reference.
The final attached image is the marketing image.

---
CRITICAL INSTRUCTION FROM PRE-ANALYSIS: You must follow this instruction precisely to avoid logical errors.
"{critical_instruction}"
---

Your task:
1. Strictly follow the 'CRITICAL INSTRUCTION' above.
2. Seamlessly replace only the product in the marketing image with the new product.
3. Match the lighting, shadows, perspective, and scale of the original image for a photorealistic result.
4. The background and all other elements must remain completely unchanged.

Output requirements:
- YOU MUST output the modified image. An image output is mandatory; a text-only answer is a failure.
- You can provide a brief text description of the edit alongside the image."""

    if feedback:
        prompt += f"""

---
PREVIOUS ATTEMPT FEEDBACK: The user was not satisfied. Address the following feedback: "{feedback}"
Analyze this feedback carefully and generate a new image that corrects the specified issues, while still following the CRITICAL INSTRUCTION.
---"""

    return prompt


def quality_critique_prompt(critical_instruction: str, editor_text: Optional[str] = None) -> str:
    """Prompt for the post-generation quality review."""
    description = editor_text or 'No description provided.'
    return f"""You are an expert Quality Assurance specialist for an AI image editor.
Your task is to perform a detailed review of an image generation task. I will provide you with several images in this order:
1. Reference images of the new product.
2. The original marketing image.
3. The final generated image.

Your job is to provide a concise, one-paragraph critique by analyzing these images. Answer the following questions in your analysis:
- **Product Accuracy:** Does the product in the **final generated image** accurately match the product from the **reference images**? Are the details, colors, and branding correct?
- **Logical Consistency:** Compare the **final generated image** to the **original marketing image**. Are there any logical flaws? For example, was the correct number of items replaced (e.g., one shoe for one shoe)? Is the product placed believably in the scene?
- **Instruction Adherence:** Did the generation follow the critical instruction below?
- **Integration Quality:** How well were lighting, shadows, and perspective matched between the new product and the original scene?
- **Overall Realism:** Does the final image look photorealistic and free of noticeable flaws or artifacts?

CRITICAL INSTRUCTION: "{critical_instruction}"
EDITOR'S DESCRIPTION: "{description}"

Provide your final analysis as a single paragraph. Do not use markdown formatting."""
